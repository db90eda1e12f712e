"""
MoveFlow API routers
"""
