"""
Report generation for lung scan analyses.
"""
