"""Summary statistic and LD matrix file handling"""
