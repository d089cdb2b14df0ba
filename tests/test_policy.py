"""
Unit tests for the expert difficulty policy
"""
from flashdeck.models import DifficultyLevel, FlashcardItem, OutputKind
from flashdeck.services.policy import is_expert_item, meets_policy, policy_applies

EXPERT_DEFINITION = (
    "Stochastic gradient descent is an optimization algorithm that estimates the gradient "
    "from random minibatches, trading variance for computational efficiency across "
    "high-dimensional parameter spaces."
)


class TestExpertPolicy:
    def test_expert_card_passes(self):
        """Two expert keywords, no banned words and a long definition pass"""
        card = FlashcardItem(term="Stochastic gradient descent", definition=EXPERT_DEFINITION)
        assert len(EXPERT_DEFINITION) > 150
        assert is_expert_item(card)

    def test_banned_phrase_fails(self):
        """Any banned phrase fails the card regardless of keywords"""
        card = FlashcardItem(term="Introduction to SGD", definition=EXPERT_DEFINITION)
        assert not is_expert_item(card)

    def test_short_definition_fails(self):
        """Definitions of 150 characters or fewer fail"""
        card = FlashcardItem(term="Quantum decoherence", definition="Quantum stochastic process.")
        assert not is_expert_item(card)

    def test_single_keyword_fails(self):
        """One distinct expert keyword is not enough"""
        definition = "x" * 160 + " quantum"
        card = FlashcardItem(term="Term", definition=definition)
        assert not is_expert_item(card)

    def test_every_card_must_pass(self):
        """One weak card fails the whole set"""
        good = FlashcardItem(term="SGD", definition=EXPERT_DEFINITION)
        weak = FlashcardItem(term="Cell", definition="The basic unit of life.")
        assert meets_policy([good, good])
        assert not meets_policy([good, weak])

    def test_policy_scope(self):
        """Only expert flashcards are checked"""
        assert policy_applies(OutputKind.FLASHCARDS, DifficultyLevel.EXPERT)
        assert not policy_applies(OutputKind.FLASHCARDS, DifficultyLevel.ADVANCED)
        assert not policy_applies(OutputKind.QUIZ, DifficultyLevel.EXPERT)
