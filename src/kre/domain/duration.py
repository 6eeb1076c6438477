"""Go-style duration strings (``4h``, ``1h30m``, ``90s``)."""

import re
from datetime import timedelta
from decimal import Decimal, InvalidOperation

_UNIT_SECONDS: dict[str, Decimal] = {
    "ms": Decimal("0.001"),
    "s": Decimal(1),
    "m": Decimal(60),
    "h": Decimal(3600),
}

_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ms|h|m|s)")


def parse_duration(raw: str) -> timedelta:
    """Parse a positive Go-style duration."""
    value = raw.strip()
    if not value:
        raise ValueError("duration must not be empty")

    total = Decimal(0)
    position = 0
    for match in _PART.finditer(value):
        if match.start() != position:
            break
        try:
            total += Decimal(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        except InvalidOperation as exc:
            raise ValueError(f"invalid duration: {raw!r}") from exc
        position = match.end()

    if position != len(value):
        raise ValueError(f"invalid duration: {raw!r} (use e.g. 4h, 30m, 1h30m)")
    if total <= 0:
        raise ValueError(f"duration must be positive: {raw!r}")
    return timedelta(seconds=float(total))


def format_duration(value: timedelta) -> str:
    """Render a duration the way Go prints it (``4h0m0s``)."""
    micros = value // timedelta(microseconds=1)
    if micros == 0:
        return "0s"
    sign = "-" if micros < 0 else ""
    micros = abs(micros)
    if micros < 1_000_000:
        return f"{sign}{(Decimal(micros) / 1000).normalize():f}ms"

    hours, rem = divmod(micros, 3_600_000_000)
    minutes, rem = divmod(rem, 60_000_000)
    seconds = Decimal(rem) / 1_000_000
    seconds_text = f"{seconds.normalize():f}"
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds_text}s"
    if minutes:
        return f"{sign}{minutes}m{seconds_text}s"
    return f"{sign}{seconds_text}s"
