"""
Command-line surface.

- bootstrap.py: composition root and JSON persistence
- commands.py: slash-command registry
- main.py: `focus-timeline` entrypoint
"""
