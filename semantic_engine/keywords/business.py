"""
semantic_engine/keywords/business.py
Business / workplace taxonomy, the default. Tuned for team chats,
project threads and stakeholder conversations.
"""

from enum import Enum

from semantic_engine.keywords.taxonomy import Role, Taxonomy


class BusinessIntent(Enum):
    ALIGNMENT   = 'alignment'
    RESISTANCE  = 'resistance'
    URGENCY     = 'urgency'
    DELEGATION  = 'delegation'
    CLOSURE     = 'closure'
    UNCERTAINTY = 'uncertainty'


KEYWORD_MAP = {

    BusinessIntent.ALIGNMENT: (
        'yes', 'yeah', 'yep', 'sure', 'absolutely', 'definitely', 'agree',
        'agreed', 'exactly', 'totally', 'approve', 'approved', 'endorse',
        'support', 'confirm', 'okay', 'makes sense', 'sounds good',
        'that works', 'good point', 'great idea', 'on board', 'buy-in',
        "let's proceed", 'move forward', 'aligned', 'same page',
    ),

    BusinessIntent.RESISTANCE: (
        'no', 'nope', 'not', "don't", "can't", "won't", "shouldn't",
        'concern', 'issue', 'problem', 'blocker', 'blocked', 'however',
        'although', 'challenge', 'disagree', 'wrong', "don't think",
        'not sure about', 'pushback', 'escalate', 'reject', 'object',
        'refuse', 'push back', 'not convinced',
    ),

    BusinessIntent.URGENCY: (
        'urgent', 'asap', 'immediately', 'now', 'quick', 'hurry',
        'deadline', 'critical', 'priority', 'time-sensitive', 'expedite',
        'rush', 'emergency', 'right away', 'end of day', 'eod',
        'by tomorrow', 'top priority', 'blocking',
    ),

    BusinessIntent.DELEGATION: (
        'please', 'kindly', 'could you', 'would you', 'can you', 'will you',
        'you should', 'you need to', 'assign', 'delegate', 'handle',
        'take care of', 'responsible for', 'owner', 'ownership',
        'action item', 'follow up', 'follow-up', 'take this on', 'loop in',
    ),

    BusinessIntent.CLOSURE: (
        'done', 'complete', 'completed', 'finished', 'finalized', 'resolved',
        'closed', 'wrapped up', 'delivered', 'shipped', 'launched',
        'milestone', 'thank', 'thanks', 'thank you', 'appreciate', 'got it',
        'all set', 'perfect', 'looks good', 'sorted', 'merged',
    ),

    BusinessIntent.UNCERTAINTY: (
        'maybe', 'perhaps', 'possibly', 'might', 'unsure', 'not sure',
        'confused', 'unclear', 'risk', 'assumption', 'reconsider', 'doubt',
        'wonder', 'hesitant', 'no idea', "don't know", 'question',
    ),
}


BUSINESS_TAXONOMY = Taxonomy(
    name     = 'business',
    intents  = BusinessIntent,
    keywords = KEYWORD_MAP,
    roles    = {
        Role.ALIGNMENT:   BusinessIntent.ALIGNMENT,
        Role.RESISTANCE:  BusinessIntent.RESISTANCE,
        Role.URGENCY:     BusinessIntent.URGENCY,
        Role.CLOSURE:     BusinessIntent.CLOSURE,
        Role.UNCERTAINTY: BusinessIntent.UNCERTAINTY,
    },
)
