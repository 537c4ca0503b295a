"""
Model package for lung scan decision support.

Provides the clinical and image scoring backends, the arbitration between
them, and the async analysis pipeline. None of the backends is a medical
model; they are deterministic stand-ins so the repository stays runnable.
"""
