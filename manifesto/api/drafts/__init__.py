"""Saved design drafts"""
