"""
Query predicate helpers shared by the CRUD classes
"""


def escape_like(value: str, escape: str = "\\") -> str:
    """
    Escape LIKE wildcards so the value matches literally
    """
    return (
        value.replace(escape, escape + escape)
        .replace("%", escape + "%")
        .replace("_", escape + "_")
    )


def contains_ci(column, value: str):
    """
    Case-insensitive substring match on a text column
    """
    return column.ilike(f"%{escape_like(value)}%", escape="\\")
