"""TrendSeer AI: trend analysis chat backed by Gemini, live search data and per-user memory."""

__version__ = "1.0.0"
