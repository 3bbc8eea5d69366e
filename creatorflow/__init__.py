"""CreatorFlow Sync - optimistic data layer for a content creator dashboard."""
