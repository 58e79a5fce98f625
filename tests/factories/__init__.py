"""Test factories for Softer domain models and collaborators."""
