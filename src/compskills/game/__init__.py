"""Skill extraction, participants and bonus calculation."""
