"""
Connectors.

- console_connector.py: interactive slash-command REPL
- ticker_runner.py: background thread driving the session ticker
"""
