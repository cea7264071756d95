"""Installer orchestration and the collaborators it talks to."""
