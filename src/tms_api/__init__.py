"""HTTP surface for the TrackMyStartup session service."""
