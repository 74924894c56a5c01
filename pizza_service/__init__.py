"""JWT Pizza service - Backend.

A pizza-ordering API:
- Diners register, log in, browse the menu and place orders.
- Franchisees manage the stores of the franchises they administer.
- Admins manage the menu, franchises and every user.

Orders are forwarded to the external pizza factory, and request/auth/purchase
counters are pushed periodically to an OTLP metrics endpoint.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
