"""ABOUTME: Domain layer for the authentication hardening core
ABOUTME: Plain Python objects with no persistence or framework dependencies"""
