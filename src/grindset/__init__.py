"""grindset: spaced-repetition scheduling and study-session tracking."""

from grindset.consts import VERSION

__version__ = VERSION
