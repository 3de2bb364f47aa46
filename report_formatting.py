def fmt_count(value):
    """Thousands-separated integer, '0' for missing values."""
    if value is None:
        return "0"
    return f"{int(value):,}"


def fmt_pct(value, digits=1):
    if value is None:
        return "0%"
    return f"{value:.{digits}f}%"


def format_service_name(name):
    """document_capture -> Document Capture. Only the first letter of each word changes."""
    return " ".join(word[:1].upper() + word[1:] for word in str(name).split("_"))


def truncate_label(label, max_len=18):
    return label if len(label) <= max_len else label[:max_len] + "..."
