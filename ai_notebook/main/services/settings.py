"""User preferences persisted in the database settings table."""

from .database import NotebookDatabase

THEMES = ("system", "light", "dark")
THEME_KEY = "theme"


class InvalidThemeError(ValueError):
    pass


def get_theme(db: NotebookDatabase) -> str:
    theme = db.get_setting(THEME_KEY)
    if theme in ("light", "dark"):
        return theme
    return "system"


def set_theme(db: NotebookDatabase, theme: str):
    if theme not in THEMES:
        raise InvalidThemeError(f"Unknown theme: {theme}")
    db.set_setting(THEME_KEY, theme)
