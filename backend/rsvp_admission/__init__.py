"""Event RSVP admission control with a priority-tiered waitlist."""

__version__ = "1.0.0"
