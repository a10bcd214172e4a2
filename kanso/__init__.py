"""Kanso - AI travel planning backend"""
