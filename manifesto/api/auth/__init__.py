"""Authentication, tokens and password flows"""
