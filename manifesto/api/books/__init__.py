"""Batch book lookups"""
