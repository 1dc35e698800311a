"""Schedules domain - Barber working blocks"""
