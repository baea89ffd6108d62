"""
QuizHub test result scoring, lifecycle and leaderboard service.
"""
