"""Player identifiers supplied by the wallet provider."""


def normalize_address(address: str) -> str:
    """Normalize a wallet address for use as a store key or comparison."""
    return address.strip().lower()
