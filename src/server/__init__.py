"""
Summarization endpoint (Quart).
"""
