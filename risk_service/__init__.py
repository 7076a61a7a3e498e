"""Behavioural credit-risk scoring service."""
