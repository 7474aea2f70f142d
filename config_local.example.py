# config_local.example.py

"""
Example local overrides.

Usage:
  1) Copy this file to `config_local.py`
  2) Adjust values for your machine
  3) Never commit `config_local.py` (it is gitignored)

Prefer `.env`. This file should contain only safe overrides.
"""

# Example: run the ticker without the interactive console
# CONSOLE_ENABLED = False
