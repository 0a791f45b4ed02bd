"""update-qtile — rebuild and reinstall qtile-git from any upstream ref."""

__version__ = "0.1.0"
