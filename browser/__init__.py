"""
browser — Web Access Module

Live web search used when a turn needs up-to-date information.
Part of Vesper — Local-First Personal Assistant.
"""
