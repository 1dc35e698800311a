"""Haircuts domain - Haircut types and base prices"""
