"""Driving-license theory test trainer API."""
