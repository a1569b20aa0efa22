"""Native widgets hosted by the main window."""
