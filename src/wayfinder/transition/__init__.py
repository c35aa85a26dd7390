"""Transitions: segment diff, guard resolution, and the cancellable pipeline."""
