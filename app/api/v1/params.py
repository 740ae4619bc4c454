from typing import Optional, Tuple

from app.core.errors import ValidationFailure


def parse_folder_filter(raw: Optional[str], field: str = "folderId") -> Tuple[Optional[int], bool]:
    """Parse a folder query parameter.

    Returns ``(folder_id, filtered)``: a missing value is no filter,
    ``"null"`` filters to the root level, digits filter to one folder.
    """
    if raw is None or raw == "":
        return None, False
    if raw == "null":
        return None, True
    try:
        return int(raw), True
    except ValueError:
        raise ValidationFailure(f"{field} must be a folder id or 'null'", field=field)
