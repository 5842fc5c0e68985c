def pretty_time(seconds: float, short: bool = False) -> str:
    """
    Formats seconds as h:mm:ss.ss, or in the short form drops leading zero
    units (e.g. 75.5 -> '1:15.50', 4.25 -> '4.25').
    """
    hours = int(seconds // 3600)
    seconds -= hours * 3600
    minutes = int(seconds // 60)
    seconds -= minutes * 60

    sec_str = f"{seconds:05.2f}" if (not short or hours or minutes) else f"{seconds:.2f}"

    if not short:
        return f"{hours}:{minutes:02}:{sec_str}"

    ret = ""
    if hours:
        ret += f"{hours}:"
    if hours or minutes:
        ret += f"{minutes:02}:" if hours else f"{minutes}:"
    return ret + sec_str


def clock_time(seconds: float) -> str:
    """Whole-second timestamp as [h:][mm:]ss."""
    s = int(seconds)
    m = s // 60
    h = m // 60
    s %= 60
    m %= 60

    ret = ""
    if h:
        ret += f"{h}:"
    if h or m:
        ret += f"{m:02}:"
    return ret + f"{s:02}"
