"""Users domain - Authentication, accounts and profiles"""
