"""
Subscribers app.

Service packages, the subscribers (PPPoE and hotspot customers) that buy
them, payment links issued to subscribers, and the reconciliation engine
that turns a payment into a service-period extension.
"""
