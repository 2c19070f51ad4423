"""Presentation-side collaborators: events, actions, style projection, Qt glue."""
