"""
core — Core Logic Module

Contains the turn pipeline: deterministic classifier, date resolver,
context providers, search router, prompt assembler and verification.
Part of Vesper — Local-First Personal Assistant.
"""
