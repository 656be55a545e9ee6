"""SunSano shop backend and checkout orchestration."""

__version__ = "1.0.0"
