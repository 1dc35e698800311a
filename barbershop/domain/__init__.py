"""Business domains: one package per resource with schemas, repository, service and router"""
