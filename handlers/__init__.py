"""
handlers/ - Presentation Layer
================================
HTTP route handlers. Each handler receives a request, delegates to the
appropriate Service, and turns the result into a response.
No business logic lives here.
"""
