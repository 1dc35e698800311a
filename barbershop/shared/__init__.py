"""Validation helpers shared across domains"""
