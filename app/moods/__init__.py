"""
Módulo de check-ins de humor.

Implementa:
- Registro e listagem de check-ins por usuário
- Sugestões de bem-estar pelo humor mais recente
- Estatísticas semanais com cache
"""
from app.moods.models import Mood, MoodType

__all__ = ["Mood", "MoodType"]
