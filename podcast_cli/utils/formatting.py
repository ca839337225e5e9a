"""
Small helpers turning byte counts, durations and titles into display strings.
"""

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_size(num_bytes: int) -> str:
    """'145.3 MB' style size with one decimal, using 1024-based units."""
    size = float(max(num_bytes, 0))
    for unit in SIZE_UNITS[:-1]:
        if size < 1024:
            break
        size /= 1024
    else:
        unit = SIZE_UNITS[-1]
    if unit == "B":
        return f"{int(size)} B"
    return f"{size:.1f} {unit}"


def format_duration(seconds: float) -> str:
    """'1h 02m 05s' style duration; leading zero fields are left out."""
    total = int(seconds)
    if total < 60:
        return f"{total}s"
    minutes, secs = divmod(total, 60)
    if minutes < 60:
        return f"{minutes}m {secs:02d}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes:02d}m {secs:02d}s"


def truncate_label(label: str, max_length: int) -> str:
    """Shortens a label to ``max_length`` characters, marking the cut with '…'."""
    if max_length <= 0:
        return ""
    if len(label) <= max_length:
        return label
    return label[: max_length - 1] + "…"
