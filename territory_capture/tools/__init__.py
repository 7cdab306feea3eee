"""Developer tools for inspecting captures offline."""
