"""
Вспомогательные модули RAW Focus
"""
