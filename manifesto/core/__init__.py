"""Core infrastructure: configuration, database, errors, middleware"""
