"""Personal reading library"""
