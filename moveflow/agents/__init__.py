"""
MoveFlow background jobs
"""
