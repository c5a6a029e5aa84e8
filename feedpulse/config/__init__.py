"""FeedPulse configuration."""
