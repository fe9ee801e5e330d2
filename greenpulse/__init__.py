"""GreenPulse: turns logged daily activities into environmental impact, scores and Green Points."""

__version__ = "1.0.0"
