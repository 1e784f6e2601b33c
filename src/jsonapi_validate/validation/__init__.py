"""Validators, rules and error translation."""
