"""xc-bot: Threema notifications for new XContest flights."""

__version__ = "0.5.0"
