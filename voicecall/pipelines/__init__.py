"""Generation backends and prompt rendering."""
