"""age-edit: edit age-encrypted files with any editor."""

__version__ = "0.14.0"
