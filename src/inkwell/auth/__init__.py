"""Authentication and authorization.

Learn: two independent credential channels resolve to one identity:
1. Session cookie → server-side session record (Redis or memory)
2. Authorization: Bearer <jwt> → stateless signed token

The session always wins when both are present. Route handlers only ever
see the resolved Identity and never look at cookies or headers.
"""
