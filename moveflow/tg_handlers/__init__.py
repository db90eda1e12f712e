"""
MoveFlow Telegram Bot
"""
