"""Test doubles for provider clients"""
