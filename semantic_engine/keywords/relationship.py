"""
semantic_engine/keywords/relationship.py
Relationship taxonomy for personal / romantic conversations, with the
Zambian (Lusaka: English, Nyanja, Bemba, code-switching) cultural variant.

Variant keywords are merged into the base lists only when the variant's
cultural context is active; they never replace base keywords.
"""

from enum import Enum

from semantic_engine.keywords.taxonomy import Role, Taxonomy


class RelationshipIntent(Enum):
    AFFECTION      = 'affection'
    CONFLICT       = 'conflict'
    URGENCY        = 'urgency'
    COMMITMENT     = 'commitment'
    RECONCILIATION = 'reconciliation'
    UNCERTAINTY    = 'uncertainty'
    DRAMA          = 'drama'
    PASSION        = 'passion'


KEYWORD_MAP = {

    RelationshipIntent.AFFECTION: (
        'love you', 'i love you', 'love', 'adore', 'in love', 'my everything',
        'babe', 'baby', 'bae', 'honey', 'sweetheart', 'sweetie', 'darling',
        'my love', 'my heart', 'handsome', 'beautiful', 'gorgeous', 'cute',
        'miss you', 'missing you', 'thinking of you', 'proud of you',
        'care about you', 'here for you', 'got your back', 'hugs', 'kisses',
        'cuddle', 'soulmate', 'you make me happy', 'lucky to have you',
        'wonderful', 'special',
    ),

    RelationshipIntent.CONFLICT: (
        'angry', 'mad', 'furious', 'pissed', 'upset', 'annoyed', 'irritated',
        'frustrated', 'fed up', 'sick of', 'tired of', 'had enough',
        'leave me alone', 'hate you', 'hate', 'shut up', 'lying', 'liar',
        'cheating', 'cheater', 'betrayed', 'you lied', 'you promised',
        'you never', 'you always', 'here we go again', 'disrespect',
        'hurt me', 'broke my heart', 'its over', "it's over", 'we are done',
        'breaking up', 'your fault', 'because of you', 'not my fault',
        'whatever', 'if you say so',
    ),

    RelationshipIntent.URGENCY: (
        'where are you', 'are you there', 'answer me', 'answer your phone',
        'pick up', 'call me back', 'text me back', 'reply', 'respond',
        'ignoring me', 'left on read', 'now', 'right now', 'asap',
        'immediately', 'urgent', 'emergency', 'we need to talk',
        'need to talk', 'important', 'waiting', 'still waiting', 'worried',
        'anxious', 'scared', 'panic', 'hurry', 'quick', 'quickly',
        'come now', 'help me', 'something happened',
    ),

    RelationshipIntent.COMMITMENT: (
        'marry me', 'marriage', 'wedding', 'wife', 'husband', 'engaged',
        'forever', 'promise', 'i promise', 'i swear', 'commitment',
        'committed', 'devoted', 'our future', 'future together',
        'build a life', 'move in together', 'live together',
        'start a family', 'anniversary', 'make it official', 'boyfriend',
        'girlfriend', 'relationship', 'together', 'loyal', 'faithful',
        'never leave', 'not going anywhere', 'ride or die', 'no matter what',
        'exclusive', 'trust you', 'count on you',
    ),

    RelationshipIntent.RECONCILIATION: (
        'sorry', 'im sorry', "i'm sorry", 'so sorry', 'apologize',
        'apologies', 'forgive me', 'forgive', 'i was wrong', 'my bad',
        'my mistake', 'second chance', 'start over', 'try again',
        'make it up to you', 'make it right', 'fix this', 'work it out',
        'talk it out', "let's talk", 'lets talk', 'move past this',
        'no hard feelings', 'make peace', 'truce', 'stop fighting',
        'calm down', 'still love you', 'i understand', 'you were right',
        'compromise', 'meet halfway', 'fresh start', 'heal',
    ),

    RelationshipIntent.UNCERTAINTY: (
        'do you love me', 'do you still love me', 'am i enough',
        'where do we stand', 'what are we', 'are you happy', 'who is that',
        'who was that', 'someone else', 'can i trust you', "don't trust",
        'trust issues', 'insecure', 'not good enough', 'how do i know',
        'prove it', 'are we official', 'where is this going', 'distant',
        'pulling away', 'something changed', 'acting weird', "what's wrong",
        'whats wrong', 'mad at me', 'doubt', 'second thoughts', 'not sure',
        'unsure', 'uncertain', 'confused', 'mixed feelings', 'hesitant',
    ),

    RelationshipIntent.DRAMA: (
        'side chick', 'side guy', 'side piece', 'small house', 'player',
        'people are saying', 'someone told me', 'everyone knows',
        'friends told me', 'saw you', 'caught you', 'exposed', 'gossip',
        'rumors', 'your ex', 'baby mama', 'baby daddy', 'your family',
        'your friends', 'posting about', 'screenshot', 'receipts',
        'checked your phone', 'found out', 'evidence', 'made a scene',
        'embarrassed me', 'humiliated', 'bad influence',
    ),

    RelationshipIntent.PASSION: (
        'crave you', 'need you so bad', 'want you', 'need you',
        'dying to see you', "can't stop thinking", 'cant stop thinking',
        'driving me crazy', 'obsessed', 'addicted to you', 'desire',
        'chemistry', 'spark', 'butterflies', 'heart racing', 'longing',
        'yearning', 'miss you so much', 'irresistible', 'attractive',
        'romantic', 'romance', 'date night', 'candlelight', 'roses',
        'getaway', 'honeymoon', 'tonight', 'in my arms', 'flirt',
        'flirting',
    ),
}


CULTURAL_VARIANTS = {
    'zambian': {
        RelationshipIntent.AFFECTION: (
            'nakukonda', 'ninakonda', 'chikondi changa', 'wangu', 'mwandi',
            'mukwai wangu', 'ndiwe wandi', 'iwe weka', 'chabe chabe',
            'mwaishibukwa', 'mwabomba', 'ka sweetness', 'ka babe',
            'chipuba', 'mwana wangu', 'nkhuku yanga',
        ),
        RelationshipIntent.CONFLICT: (
            'ayi iwe', 'mbuzi', 'chamba', 'chi nonsense', 'ka rubbish',
            'mxm', 'sies', 'ati what', 'ati ati', 'yasila', 'chaipa',
            'kulibe', 'mwalilatu', 'iwe mbuzi', 'iwe chamba',
        ),
        RelationshipIntent.URGENCY: (
            'manje', 'manje manje', 'pa ground', 'now now', 'lelo',
            'lelo lelo', 'uli kuti', 'muli kuti', 'uko kuti', 'bwanji',
            'uli bwanji',
        ),
        RelationshipIntent.COMMITMENT: (
            'lobola', 'ukwati', 'banja', 'tizakwatana', 'nakweba',
            'tili pamodzi', 'pamodzi', 'tizafika', 'ndine nawe', 'ku banja',
            'chingalume', 'kitchen party', 'traditional marriage',
        ),
        RelationshipIntent.RECONCILIATION: (
            'pepani', 'ndalakwa', 'mwandi pepani', 'ndikhalape',
            'ninshi kulakwa', 'ba sorry', 'ka sorry', 'iwe pepani',
            'kulibe matata', 'tizakwanisa', 'tizalanga', 'tili bwino',
            'kulibe problem', 'kulibe drama',
        ),
        RelationshipIntent.UNCERTAINTY: (
            'kanshi', 'ninshi', 'shem', 'eish', 'iwe serious', 'ati sure',
            'muli serious', 'mwandi sure', 'iwe certain', 'ati iwe',
            'manje iwe', 'ba truth', 'chi truth',
        ),
        RelationshipIntent.DRAMA: (
            'ba drama', 'chi drama', 'ba gossip', 'ma rumors', 'chi news',
            'ba news', 'chi talk', 'ba talk', 'bantu balekamba',
            'ba situation', 'chi situation', 'manje drama', 'ma ex',
            'ka drama queen', 'chi player', 'ma player', 'ka side chick',
            'ka small house',
        ),
        RelationshipIntent.PASSION: (
            'mwashibukeni', 'ninshi kupusa', 'ka hotness', 'iwe fine',
            'fine sana', 'mwandi sweetness', 'sweet like sugar',
            'nakukonda sana sana', 'ka date', 'ka outing',
        ),
    },
}


RELATIONSHIP_TAXONOMY = Taxonomy(
    name              = 'relationship',
    intents           = RelationshipIntent,
    keywords          = KEYWORD_MAP,
    roles             = {
        Role.ALIGNMENT:   RelationshipIntent.AFFECTION,
        Role.RESISTANCE:  RelationshipIntent.CONFLICT,
        Role.URGENCY:     RelationshipIntent.URGENCY,
        Role.CLOSURE:     RelationshipIntent.RECONCILIATION,
        Role.UNCERTAINTY: RelationshipIntent.UNCERTAINTY,
    },
    cultural_variants = CULTURAL_VARIANTS,
)
