"""Core types, policies and exceptions for the studygen pipeline."""
