"""Profile and shipping address endpoints"""
