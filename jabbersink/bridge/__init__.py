"""Bridge layer between jabbersink and the XMPP client library.

Modules
-------
transport
    ``SessionTransport`` protocol plus ``SlixmppTransport``, which wraps
    ``slixmpp.ClientXMPP`` behind blocking connect / authenticate / send /
    disconnect calls.

slixmpp is an optional import: when it is missing, constructing a
``SlixmppTransport`` raises ``TransportInitError`` while the rest of the
package (and any custom transport) keeps working.
"""
