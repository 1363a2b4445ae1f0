"""LoveStory geo core: couple proximity detection and visited-place clustering."""
