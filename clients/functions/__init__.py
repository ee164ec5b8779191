"""Engine services built on the Polymarket clients."""
