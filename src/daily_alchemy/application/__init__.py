"""
Application layer for the Daily Alchemy engine.

This layer contains application services that orchestrate domain models and infrastructure.
Services coordinate between the domain layer and external collaborators like storage and sources.
"""
