"""Change detection and round timelines for counselling announcements."""
