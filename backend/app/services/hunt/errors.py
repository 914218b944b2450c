class HuntError(Exception):
    """Base class for rule violations raised by the game engine.

    ``code`` names the kind of violation so the transport layer can
    surface it verbatim.
    """

    code = 'HuntError'
    message = 'Operation rejected.'

    def __init__(self, message: str = None):
        super().__init__(message or self.message)

    def to_dict(self):
        return {'error': str(self), 'code': self.code}


class InvalidGameCode(HuntError):
    code = 'InvalidGameCode'
    message = 'Bad access code.'


class InvalidTeamCode(HuntError):
    code = 'InvalidTeamCode'
    message = 'Unknown team code.'


class MissingDisplayName(HuntError):
    code = 'MissingDisplayName'
    message = 'Display name is required.'


class MissingProof(HuntError):
    code = 'MissingProof'
    message = 'Photo proof is required to claim a bar.'


class GameWindowClosed(HuntError):
    code = 'GameWindowClosed'
    message = 'Game is not active.'


class BarLocked(HuntError):
    code = 'BarLocked'
    message = 'Bar is locked.'


class BarNotClaimed(HuntError):
    code = 'BarNotClaimed'
    message = 'Bar is not claimed by anyone.'


class BarNotOwnedByCaller(HuntError):
    code = 'BarNotOwnedByCaller'
    message = 'You must claim the bar first.'


class AlreadyLocked(HuntError):
    code = 'AlreadyLocked'
    message = 'Bar is already locked.'


class AlreadyOwnedByOther(HuntError):
    code = 'AlreadyOwnedByOther'
    message = 'Bar is owned by another team; steal it instead.'


class CannotStealOwnBar(HuntError):
    code = 'CannotStealOwnBar'
    message = 'You already own this bar.'


class PenaltyActive(HuntError):
    code = 'PenaltyActive'
    message = 'Team under penalty.'


class NoActiveChallenge(HuntError):
    code = 'NoActiveChallenge'
    message = 'No active challenge.'


class ChallengeAlreadyActive(HuntError):
    code = 'ChallengeAlreadyActive'
    message = 'You already have an active challenge.'


class VetoTooEarly(HuntError):
    code = 'VetoTooEarly'

    def __init__(self, remaining_minutes: int, minimum_minutes: int = 12):
        self.remaining_minutes = remaining_minutes
        super().__init__(
            f'Must attempt at least {minimum_minutes} minutes. '
            f'Wait {remaining_minutes} more minute(s).'
        )

    def to_dict(self):
        payload = super().to_dict()
        payload['remaining_minutes'] = self.remaining_minutes
        return payload


class DeckNotLoaded(HuntError):
    code = 'DeckNotLoaded'
    message = 'Deck not uploaded yet.'


class DeckExhausted(HuntError):
    code = 'DeckExhausted'
    message = 'No more cards.'


class InvalidDeck(HuntError):
    code = 'InvalidDeck'
    message = 'Deck could not be parsed.'


class InvalidBarSpec(HuntError):
    code = 'InvalidBarSpec'
    message = 'Invalid bar specification.'


class InvalidTeamConfig(HuntError):
    code = 'InvalidTeamConfig'
    message = 'Team code and name are required.'


class InvalidGameWindow(HuntError):
    code = 'InvalidGameWindow'
    message = 'Game end must not be before game start.'
