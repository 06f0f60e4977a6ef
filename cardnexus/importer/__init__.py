"""
Card data import pipeline.

normalize -> loader -> runner, plus the set and deck importers.
"""
