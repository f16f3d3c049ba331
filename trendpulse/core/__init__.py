"""Core building blocks shared by every TrendPulse component."""
