"""
Utility functions
"""
import random
import re
import time
import uuid
from datetime import datetime


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def generate_team_id() -> str:
    """
    Generate a human-readable team code from a fresh random UUID

    Returns:
        String of the form TEAM-XXXX-XXXX (uppercase hex)

    Example:
        >>> generate_team_id()  # doctest: +SKIP
        'TEAM-3F9A-01BC'
    """
    digits = uuid.uuid4().hex.upper()
    return f"TEAM-{digits[:4]}-{digits[4:8]}"


def is_valid_email(email: str) -> bool:
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def format_registered_on(moment: datetime) -> str:
    """Format a timestamp for confirmation messages, e.g. 'October 18, 2026 at 09:05 AM'"""
    return f"{moment.strftime('%B')} {moment.day}, {moment.year} at {moment.strftime('%I:%M %p')}"


def upload_filename(extension: str) -> str:
    """
    Build a stored filename for an uploaded ID document

    Args:
        extension: File extension with or without the leading dot ('' for none)

    Returns:
        id-<epoch millis>-<random>.<ext>
    """
    suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    ext = extension.lstrip(".").lower()
    return f"id-{suffix}.{ext}" if ext else f"id-{suffix}"
