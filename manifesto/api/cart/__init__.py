"""Shopping cart"""
