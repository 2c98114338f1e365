"""Member users service.

User accounts, authority assignment and bulk CSV provisioning for the member
portal. Tokens are issued elsewhere; this service trusts the principal
forwarded by the gateway.
"""

__version__ = "0.1.0"
