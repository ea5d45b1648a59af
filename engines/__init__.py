"""
engines — Model Engine Module

Contains the model engine implementations.
Each engine implements the BaseEngine interface so the pipeline can use
a local Ollama model or a remote OpenAI-compatible endpoint interchangeably.
Part of Vesper — Local-First Personal Assistant.
"""
