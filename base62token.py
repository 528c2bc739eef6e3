#! /usr/bin/env python3

"""Randomized base62 tokens backed by a single unsigned 64-bit integer.

The outside world addresses a token by its text form, while storage
may keep the raw integer for fast, indexed lookups.

Remember to check for collisions when adding randomized tokens to a
database; nothing here guarantees uniqueness or unguessability.
"""

import functools
import json
import random

ALPHABET = '0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz'
LENGTH = len(ALPHABET)
INVERTED = {ord(char): index for (index, char) in enumerate(ALPHABET)}

MIN_TOKEN_LENGTH = 1
MAX_TOKEN_LENGTH = 10
DEFAULT_TOKEN_LENGTH = 9

MAX_TOKEN = 2**64 - 1

# Exact positional weights; 62**10 still fits within 64 bits
POWERS = tuple(LENGTH ** power for power in range(MAX_TOKEN_LENGTH + 1))

class TokenError(ValueError):
    """Base class for errors raised while decoding a token"""

class TokenTooSmall(TokenError):
    def __init__(self, length):
        super().__init__('token of {} bytes is shorter than {}'
                         .format(length, MIN_TOKEN_LENGTH))
        self.length = length

class TokenTooBig(TokenError):
    def __init__(self, length):
        super().__init__('token of {} bytes is longer than {}'
                         .format(length, MAX_TOKEN_LENGTH))
        self.length = length

class InvalidCharacter(TokenError):
    def __init__(self, char, position):
        super().__init__('non-base62 character {!r} at position {}'
                         .format(char, position))
        self.char = char
        self.position = position

def encode(integer):
    """Returns INTEGER encoded as base62 string.
    Zero encodes to the empty string, and no leading '0' is emitted.
    """
    integer = _check_range(integer)
    results = []
    while integer != 0:
        integer, remainder = divmod(integer, LENGTH)
        results.append(ALPHABET[remainder])

    return ''.join(reversed(results))

def decode(text):
    """Returns Token for TEXT in base62 format.
    TEXT may be str, bytes or bytearray; a str is measured by its
    UTF-8 encoded length, so lengths always count bytes.
    May raise TokenTooSmall, TokenTooBig or InvalidCharacter,
    checked in that order.
    """
    if isinstance(text, str):
        data = text.encode('utf-8')
    elif isinstance(text, (bytes, bytearray)):
        data = bytes(text)
    else:
        raise TypeError('token text must be str or bytes, not {}'
                        .format(type(text).__name__))

    length = len(data)
    if length < MIN_TOKEN_LENGTH:
        raise TokenTooSmall(length)
    if length > MAX_TOKEN_LENGTH:
        raise TokenTooBig(length)

    integer = 0
    for position, byte in enumerate(data):
        digit = INVERTED.get(byte)
        if digit is None:
            raise InvalidCharacter(chr(byte), position)
        integer += digit * POWERS[length - position - 1]

    return Token(integer)

def generate(length=None, rng=None):
    """Returns a random, non-zero Token encoding to *up to* LENGTH chars.
    LENGTH defaults to DEFAULT_TOKEN_LENGTH and is clamped into
    [MIN_TOKEN_LENGTH, MAX_TOKEN_LENGTH].  RNG may be any object with
    a randrange() method such as random.SystemRandom(); the shared
    module-level generator is used otherwise.
    """
    if length is None:
        length = DEFAULT_TOKEN_LENGTH
    length = min(max(length, MIN_TOKEN_LENGTH), MAX_TOKEN_LENGTH)
    if rng is None:
        rng = random

    integer = rng.randrange(max_hash_int(length))
    if integer == 0:
        integer = 1             # zero is reserved as "absent"

    return Token(integer)

def max_hash_int(length):
    """Exclusive upper bound of integers encoding to LENGTH characters,
    saturating at MAX_TOKEN.
    """
    return min(LENGTH ** max(0, length), MAX_TOKEN)

def _check_range(integer):
    integer = int(integer) if isinstance(integer, Token) else integer
    if not isinstance(integer, int) or isinstance(integer, bool):
        raise TypeError('token must be an integer, not {}'
                        .format(type(integer).__name__))
    if not 0 <= integer <= MAX_TOKEN:
        raise ValueError('token {} outside of 0..{}'.format(integer, MAX_TOKEN))
    return integer

@functools.total_ordering
class Token:
    """Unsigned 64-bit integer exchanged as base62 text"""

    __slots__ = ('value',)

    def __init__(self, value=0):
        self.value = _check_range(value)

    @classmethod
    def from_text(cls, text):
        return decode(text)

    def encode(self):
        return encode(self.value)

    def marshal_text(self):
        """Returns encoded form as ASCII bytes; never fails"""
        return self.encode().encode('ascii')

    def unmarshal_text(self, data):
        """Replace value by decoding DATA (bytes or str).
        Leaves value untouched when decoding fails.
        """
        self.value = decode(data).value

    def __int__(self):
        return self.value

    def __index__(self):
        return self.value

    def __bool__(self):
        return self.value != 0

    def __eq__(self, other):
        if isinstance(other, Token):
            return self.value == other.value
        if isinstance(other, int):
            return self.value == other
        return NotImplemented

    def __lt__(self, other):
        if isinstance(other, Token):
            return self.value < other.value
        if isinstance(other, int):
            return self.value < other
        return NotImplemented

    def __hash__(self):
        return hash(self.value)

    def __str__(self):
        return self.encode()

    def __repr__(self):
        return 'Token({})'.format(self.value)

class TokenJSONEncoder(json.JSONEncoder):
    """Serialize Token values as their base62 text"""

    def default(self, o):
        if isinstance(o, Token):
            return o.encode()
        return super().default(o)
