"""Barbers domain - Staff accounts management"""
