"""Barbershop management API"""
