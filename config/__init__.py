# Configuration package for the dashboard
