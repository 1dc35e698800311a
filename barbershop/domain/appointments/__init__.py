"""Appointments domain - Booking, availability and appointment lifecycle"""
