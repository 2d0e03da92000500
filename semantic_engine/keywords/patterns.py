"""
semantic_engine/keywords/patterns.py
Taxonomy-independent tables: linguistic pattern markers, toxicity
categories, and the default tokenizer stop words.
"""

from typing import Dict, FrozenSet, Tuple


STOP_WORDS: FrozenSet[str] = frozenset({
    'a', 'an', 'the', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for',
    'of', 'with', 'by', 'from', 'as', 'is', 'was', 'are', 'were', 'be',
    'been', 'have', 'has', 'had', 'do', 'does', 'did', 'will', 'would',
    'should', 'can', 'could', 'may', 'might', 'must', 'i', 'you', 'he',
    'she', 'it', 'we', 'they', 'them', 'my', 'your', 'his', 'her', 'its',
    'our', 'their',
})


# ── LINGUISTIC PATTERNS ──────────────────────────────────────

PATTERN_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    'question': (
        'what', 'when', 'where', 'who', 'why', 'how', 'which', 'whose',
    ),
    'greeting': (
        'good morning', 'good afternoon', 'good evening', 'good night',
        'goodnight', 'sweet dreams', 'hi', 'hey', 'hello', 'howdy', 'gm',
        'morning all', 'hi all', 'hey team', 'hi team',
    ),
    'acknowledgment': (
        'ok', 'okay', 'alright', 'got', 'understood', 'noted', 'kk', 'cool',
        'fine', 'sure', 'yep', 'yeah', 'yes', 'roger', 'ack', 'sounds',
        'eeya', 'eya', 'sawa', 'oki', 'okie',
    ),
    'time_sensitive': (
        'now', 'immediately', 'urgent', 'asap', 'today', 'tonight',
        'tomorrow', 'hurry', 'quick', 'quickly', 'fast', 'waiting',
        'deadline', 'eod', 'manje', 'lelo',
    ),
    'negation': (
        'not', 'no', 'dont', 'doesnt', 'didnt', 'wont', 'cant', 'couldnt',
        'wouldnt', 'shouldnt', 'never', 'nothing', 'nobody', 'nowhere',
        'neither', 'nor', 'none', 'ayi', 'kulibe',
    ),
    'hedging': (
        'maybe', 'perhaps', 'possibly', 'probably', 'think', 'guess',
        'suppose', 'kinda', 'sorta', 'somewhat', 'kanshi', 'ninshi', 'shem',
    ),
    'conditional': (
        'if', 'unless', 'provided', 'assuming', 'suppose', 'depends',
        'depending', 'otherwise', 'else', 'either', 'whether',
    ),
    'endearment': (
        'babe', 'baby', 'bae', 'honey', 'sweetheart', 'sweetie', 'darling',
        'love', 'dear', 'wangu', 'mwandi', 'chikondi',
    ),
}


# ── TOXICITY ─────────────────────────────────────────────────
# Matched independently per category. Keys are the snake_case names
# reported in ToxicityFlags.matched_patterns.

TOXICITY_KEYWORDS: Dict[str, Tuple[str, ...]] = {

    'insults': (
        'idiot', 'stupid', 'dumb', 'fool', 'moron', 'dummy', 'trash',
        'garbage', 'pathetic', 'worthless', 'useless', 'loser', 'ugly',
        'disgusting', 'mbuzi', 'chamba', 'nonsense', 'rubbish',
    ),

    'aggression': (
        'hate you', 'kill', 'destroy', 'attack', 'fight', 'screw you',
        'shut up', 'piss off', 'get lost', 'threaten', 'hurt you', 'harm you',
        'violence', 'violent', 'slap', 'punch', 'beat you', 'regret',
    ),

    'dismissive': (
        'whatever', "don't care", 'dont care', 'who cares', 'so what',
        'good for you', 'cool story', 'nobody asked', "didn't ask",
        'your point', 'boring', 'waste of time', 'waste my time',
        'not worth it', 'beneath me',
    ),

    'manipulation': (
        'you always', 'you never', 'everyone thinks', 'nobody likes you',
        'here we go again', 'guilt trip', 'playing victim', 'overreacting',
        'too sensitive', "you're crazy", 'youre crazy', 'psycho',
        'paranoid', 'imagining things', 'never happened', 'you made that up',
        'twisting my words', 'putting words in my mouth',
    ),

    'blame': (
        'your fault', 'you caused', 'because of you', 'you ruined',
        'you screwed up', 'you messed up', 'you failed', 'this is on you',
        'you did this', 'you made me', 'forced me', 'look what you made me do',
        'drove me to this',
    ),

    'emotional_abuse': (
        'nobody will love you', 'nobody wants you', 'lucky to have me',
        'nobody else will want you', "can't do better", 'cant do better',
        'nothing without me', 'worthless without me', 'belong to me',
        "can't leave", 'cant leave', "won't survive", 'ruin you',
        'embarrass you', 'expose you', 'control you', 'own you',
    ),

    'sexual_pressure': (
        'you owe me sex', 'not a real man', 'not a real woman',
        'prove you love me', 'if you loved me', 'everyone does it',
        "don't you want me", 'dont you want me', 'leading me on',
    ),

    'financial_abuse': (
        'i pay for everything', 'my money', 'living off me',
        'using my money', 'gold digger', 'cost me', 'owe me', 'bought you',
    ),

    'isolation': (
        'your friends are bad', 'family is toxic', 'choose me or them',
        'me or your friends', 'stop talking to', 'cut them off',
        "shouldn't see", 'shouldnt see', 'always with them',
        'they control you',
    ),
}

# Any of these forces severity to critical regardless of count.
CRITICAL_TOXICITY = frozenset({'emotional_abuse', 'sexual_pressure', 'isolation'})
