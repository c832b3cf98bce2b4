"""
Domain entities, wire schemas and errors.
"""
