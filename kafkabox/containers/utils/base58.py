import secrets

ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


def random_string(length: int) -> str:
    """
    Generates a random string drawn from the Base58 alphabet.

    Base58 leaves out characters that are easy to confuse (0, O, I, l), which
    keeps generated container names and network aliases readable.

    Args:
        length (int): Number of characters to generate.

    Returns:
        str: The random string.

    Raises:
        ValueError: If length is negative.
    """
    if length < 0:
        raise ValueError(f"Length must be non-negative, got {length}")
    return "".join(secrets.choice(ALPHABET) for _ in range(length))
