"""Platform collaborators: preferences, transient messages, UI loop."""
