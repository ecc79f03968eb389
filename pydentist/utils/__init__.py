"""Shared data structures, statistics and errors"""
