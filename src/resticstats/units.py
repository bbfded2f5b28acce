from __future__ import annotations


_BYTE_UNITS = ["B", "KiB", "MiB", "GiB", "TiB", "PiB", "EiB"]


def format_bytes(count: int) -> str:
    """Render ``count`` with a 1024-based suffix; below 1 KiB as an integer, otherwise to three decimals."""
    exponent = 0
    while exponent < len(_BYTE_UNITS) - 1 and count >= 1024 ** (exponent + 1):
        exponent += 1

    if exponent == 0:
        return f"{count} B"
    return f"{count / 1024 ** exponent:.3f} {_BYTE_UNITS[exponent]}"


def format_seconds(seconds: int) -> str:
    """Render ``seconds`` as ``1h2m3s``, leaving out zero-valued units; zero is ``0s``."""
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)

    parts = [f"{value}{unit}" for value, unit in ((hours, "h"), (minutes, "m"), (secs, "s")) if value]
    return "".join(parts) or "0s"
