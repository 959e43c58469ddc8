"""
Redis-backed OpenID Connect provider front end.
"""
