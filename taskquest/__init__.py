"""taskquest - gamified to-do list backend."""
