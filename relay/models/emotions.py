"""
Canned replies keyed by the dominant emotion detected by Hume.

Hume reports many prosody emotions; the relay only recognises a small fixed set
and answers anything else with the neutral reply.
"""

from enum import Enum
from typing import Iterable, Optional

from relay.models.message_schemas import EmotionScore


class Emotion(str, Enum):
    JOY = "joy"
    SADNESS = "sadness"
    ANGER = "anger"
    FEAR = "fear"
    SURPRISE = "surprise"
    DISGUST = "disgust"
    NEUTRAL = "neutral"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "Emotion":
        """Map a Hume emotion label to a known emotion, defaulting to NEUTRAL."""
        if not name:
            return cls.NEUTRAL
        try:
            return cls(name.strip().lower())
        except ValueError:
            return cls.NEUTRAL


EMOTION_RESPONSES = {
    Emotion.JOY: "I can hear the happiness in your voice. That's wonderful!",
    Emotion.SADNESS: "I sense some sadness. Would you like to talk about what's on your mind?",
    Emotion.ANGER: "I notice some frustration. Let's work through this together.",
    Emotion.FEAR: "I can hear some concern in your voice. You're safe here.",
    Emotion.SURPRISE: "That sounds surprising! Tell me more about what happened.",
    Emotion.DISGUST: "I understand that might be difficult to discuss.",
    Emotion.NEUTRAL: "I'm here to listen. How are you feeling today?",
}


def response_for(emotion: Emotion) -> str:
    return EMOTION_RESPONSES.get(emotion, EMOTION_RESPONSES[Emotion.NEUTRAL])


def dominant_emotion(emotions: Iterable[EmotionScore]) -> Optional[EmotionScore]:
    """Return the highest-scoring emotion, or None for an empty list."""
    return max(emotions, key=lambda emotion: emotion.score, default=None)


def generate_emotional_response(emotions: Iterable[EmotionScore]) -> Optional[str]:
    """
    Pick the reply for the dominant emotion.

    Args:
        emotions: Prosody emotion scores reported by Hume

    Returns:
        The reply text, or None when no emotions were reported
    """
    top = dominant_emotion(emotions)
    if top is None:
        return None
    return response_for(Emotion.from_name(top.name))
