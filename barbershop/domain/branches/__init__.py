"""Branches domain - Barbershop locations"""
