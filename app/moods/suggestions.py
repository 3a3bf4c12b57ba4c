"""
Catálogo estático de sugestões de bem-estar por humor.
"""
from typing import Dict, List, Optional

from app.moods.models import MoodType

MOOD_SUGGESTIONS: Dict[MoodType, List[Dict[str, str]]] = {
    MoodType.STRESSED: [
        {
            "title": "Box Breathing",
            "description": "Breathe in for 4, hold for 4, exhale for 4, hold for 4",
            "duration": "1 min",
            "icon": "🫁",
        },
        {
            "title": "Neck Stretch",
            "description": "Gently roll your neck to release tension",
            "duration": "30 sec",
            "icon": "💆‍♀️",
        },
        {
            "title": "Gaze Away",
            "description": "Look at something far away to rest your eyes",
            "duration": "60 sec",
            "icon": "👀",
        },
    ],
    MoodType.TIRED: [
        {
            "title": "Stand & Stretch",
            "description": "Stand up and do some energizing stretches",
            "duration": "60 sec",
            "icon": "🤸‍♂️",
        },
        {
            "title": "Drink Water",
            "description": "Hydrate to boost your energy levels",
            "duration": "1 min",
            "icon": "💧",
        },
        {
            "title": "Brisk Walk",
            "description": "Take a quick walk to get your blood flowing",
            "duration": "2 min",
            "icon": "🚶‍♀️",
        },
    ],
    MoodType.FOCUSED: [
        {
            "title": "Plan Next Goal",
            "description": "Set a micro-goal for the next 25 minutes",
            "duration": "2 min",
            "icon": "🎯",
        },
        {
            "title": "Pomodoro Break",
            "description": "Take a 5-minute break after 25 minutes of focus",
            "duration": "5 min",
            "icon": "⏰",
        },
        {
            "title": "Light Hydration",
            "description": "Take small sips of water to stay hydrated",
            "duration": "30 sec",
            "icon": "💧",
        },
    ],
    MoodType.HAPPY: [
        {
            "title": "Maintain Flow",
            "description": "Keep up the great work and stay in the zone",
            "duration": "0 min",
            "icon": "🌟",
        },
        {
            "title": "Gratitude Note",
            "description": "Write down something you're grateful for",
            "duration": "2 min",
            "icon": "📝",
        },
        {
            "title": "Posture Check",
            "description": "Adjust your posture for continued comfort",
            "duration": "30 sec",
            "icon": "🪑",
        },
    ],
}

DEFAULT_SUGGESTIONS: List[Dict[str, str]] = [
    {
        "title": "Take a Deep Breath",
        "description": "Practice mindful breathing to center yourself",
        "duration": "2 min",
        "icon": "🫁",
    },
    {
        "title": "Stretch Break",
        "description": "Stand up and do some gentle stretches",
        "duration": "3 min",
        "icon": "🤸‍♀️",
    },
    {
        "title": "Hydrate",
        "description": "Drink a glass of water to refresh yourself",
        "duration": "1 min",
        "icon": "💧",
    },
]


def suggestions_for(mood: Optional[MoodType]) -> List[Dict[str, str]]:
    if mood is None:
        return DEFAULT_SUGGESTIONS
    return MOOD_SUGGESTIONS.get(mood, DEFAULT_SUGGESTIONS)
