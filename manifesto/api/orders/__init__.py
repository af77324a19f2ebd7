"""Orders and their status lifecycle"""
