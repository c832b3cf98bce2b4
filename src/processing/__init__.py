"""
Processing module - classification, summary generation and digest building.
"""
from processing.classifier import ALL_CATEGORIES, OTHER, classify
from processing.digest import DigestBuilder
from processing.summarizer import SummaryGenerator, SummaryOptions, build_prompt

__all__ = [
    "ALL_CATEGORIES",
    "OTHER",
    "classify",
    "DigestBuilder",
    "SummaryGenerator",
    "SummaryOptions",
    "build_prompt",
]
