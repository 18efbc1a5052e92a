"""Procedurally generated creatures for target-reaching locomotion."""
