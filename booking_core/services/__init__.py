# Services package initialization
# This file makes the services directory a Python package
