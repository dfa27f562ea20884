"""
FitConnect messaging and presence layer.

Server-side message store and push channel, plus the client-side connection
manager, event dispatcher, inbox pollers and alert producer used by the
trainer and client chat screens.
"""

__version__ = "0.1.0"
