"""Tasks module for gamified to-do management."""
