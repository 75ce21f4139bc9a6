"""Constants used throughout the FeedbackSense pipeline."""

# Confidence policy
MANUAL_OVERRIDE_CONFIDENCE = 1.0
HEURISTIC_MAX_CONFIDENCE = 0.6  # Always below a typical successful AI call
HEURISTIC_NO_MATCH_CONFIDENCE = 0.3
HEURISTIC_KEYWORD_WEIGHT = 0.15
HEURISTIC_KEYWORD_CAP = 0.7

# Sentiment thresholds (share of positive words among sentiment words)
POSITIVE_THRESHOLD = 0.6
NEGATIVE_THRESHOLD = 0.4
NEUTRAL_SCORE = 0.5

# Calibration thresholds for improvement suggestions
LOW_CONFIDENCE = 0.6
HIGH_CONFIDENCE = 0.8
TARGET_AVERAGE_CONFIDENCE = 0.7
LOW_CONFIDENCE_WRONG_SHARE = 0.2
HIGH_CONFIDENCE_WRONG_SHARE = 0.1

# Reasoning strings
MANUAL_OVERRIDE_REASONING = "Category manually changed by user"
NO_KEYWORDS_REASONING = "No specific keywords matched, defaulting to general inquiry"

# Text handling
LOG_SNIPPET_LENGTH = 50
