"""
Tenants app.

Organizations (ISPs) and the per-provider gateway configuration used to
route inbound payment callbacks back to the organization that owns the
short code or till number.
"""
