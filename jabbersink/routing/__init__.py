"""Buffered delivery of log messages to Jabber recipients.

``BufferedDispatcher`` owns the pending buffer and the per-flush protocol
cycle, ``FallbackReporter`` is where the dispatcher reports its own
failures, and ``JabberHandler`` plugs a dispatcher into ``logging``.
"""
