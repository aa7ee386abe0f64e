"""Status line extraction from child process output.

Migrators log progress as ``[timestamp] message``. Only short lines that
carry such a bracketed marker become status updates; everything else
(stack traces, verbose framework logging) is noise and is skipped.
"""

MAX_STATUS_LENGTH = 90


def parse_status_line(raw_line: str, max_length: int = MAX_STATUS_LENGTH) -> str | None:
    """Extract the status token from one output line.

    Args:
        raw_line: Line as read from stdout (a trailing newline is ignored)
        max_length: Lines at least this long are discarded

    Returns:
        The status text with bracket characters removed, or None when the
        line should not update the status.

    Example:
        >>> parse_status_line("[12:00:01] Migrating schema...")
        '12:00:01 Migrating schema...'
    """
    line = raw_line.rstrip("\r\n")
    if len(line) >= max_length:
        return None

    close = line.find("]")
    if close == -1:
        return None

    # Keep the marker contents, drop whatever prefix precedes its opening bracket
    start = line.rfind("[", 0, close)
    if start == -1:
        start = close

    return line[start:].replace("[", "").replace("]", "")
