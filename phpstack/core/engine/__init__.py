"""Provisioning engine — installer steps and the loop that runs them."""
