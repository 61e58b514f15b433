"""CLI subcommands."""

from .autocreate import AutocreateCommand
from .comment import CommentCommand
from .live import LiveCommand
from .scoreboard import ScoreboardCommand

__all__ = ["AutocreateCommand", "CommentCommand", "LiveCommand", "ScoreboardCommand"]
