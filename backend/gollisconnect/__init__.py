"""GollisConnect university portal API"""
