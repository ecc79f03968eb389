"""LD matrix construction and duplicate detection"""
