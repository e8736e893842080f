"""Remote collaborators used by FileInspector steps."""
