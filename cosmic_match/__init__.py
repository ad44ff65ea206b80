"""Cosmic Match dating service: matching, conversations and profiles."""
