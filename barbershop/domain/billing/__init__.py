"""Billing domain - ARCA electronic invoicing"""
