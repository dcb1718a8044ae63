"""Core components - project parsing, generation caches and the render pipeline"""
