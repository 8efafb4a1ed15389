"""Endpoint fallback resolver tests."""

import pytest

from blocktime.estimation.exceptions import EndpointFailureError, EstimationErrorKind
from blocktime.estimation.resolver import try_in_order


class TestTryInOrder:
    @pytest.mark.asyncio
    async def test_first_success_wins(self) -> None:
        """The first URL that succeeds is used; later URLs are never tried."""
        tried: list[str] = []

        async def op(url: str) -> int:
            tried.append(url)
            return 42

        result, url = await try_in_order(["https://a", "https://b"], op)
        assert (result, url) == (42, "https://a")
        assert tried == ["https://a"]

    @pytest.mark.asyncio
    async def test_falls_through_in_order(self) -> None:
        """Failing URLs are skipped in configured order, each tried once."""
        tried: list[str] = []

        async def op(url: str) -> str:
            tried.append(url)
            if url != "https://c":
                raise ConnectionError(f"{url} refused")
            return "ok"

        result, url = await try_in_order(["https://a", "https://b", "https://c"], op)
        assert result == "ok"
        assert url == "https://c"
        assert tried == ["https://a", "https://b", "https://c"]

    @pytest.mark.asyncio
    async def test_all_fail_lists_every_failure_in_order(self) -> None:
        """The aggregate error names each URL and its failure, in order."""

        async def op(url: str) -> None:
            raise RuntimeError(f"boom {url[-1]}")

        with pytest.raises(EndpointFailureError) as exc_info:
            await try_in_order(["https://a", "https://b"], op)

        err = exc_info.value
        assert err.kind is EstimationErrorKind.ENDPOINT_FAILURE
        assert err.failures == [("https://a", "boom a"), ("https://b", "boom b")]
        assert str(err) == "All endpoints failed: https://a: boom a, https://b: boom b"

    @pytest.mark.asyncio
    async def test_blank_exception_message_uses_type_name(self) -> None:
        async def op(url: str) -> None:
            raise TimeoutError

        with pytest.raises(EndpointFailureError) as exc_info:
            await try_in_order(["https://a"], op)
        assert exc_info.value.failures == [("https://a", "TimeoutError")]
