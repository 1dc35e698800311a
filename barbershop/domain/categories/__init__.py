"""Categories domain - Client loyalty tiers and their automatic transitions"""
