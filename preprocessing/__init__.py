"""
Preprocessing utilities for lung scan images.

Includes image loading and the simulated region highlighting step that
feeds the red-pixel image model.
"""
