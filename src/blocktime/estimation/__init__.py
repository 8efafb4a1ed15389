"""Multi-source block height and block time estimation."""
