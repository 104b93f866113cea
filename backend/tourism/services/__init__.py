"""
Domain services behind the routers
"""
