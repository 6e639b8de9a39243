# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Exceptions defined by this package"""

from __future__ import annotations

class GreeHvacError(Exception):
  """Base class for all error exceptions defined by this package."""
  pass

class DecodeError(GreeHvacError):
  """A datagram could not be decrypted or parsed.

  Raised for malformed envelope JSON, malformed base64, authentication tag
  mismatch, bad padding, and plaintext that is not a JSON object.
  """
  pass

class UnexpectedPayload(GreeHvacError):
  """A well-formed inner payload is not valid for the current session phase."""
  pass

class UnexpectedSender(GreeHvacError):
  """A datagram arrived from an address other than the configured device."""
  pass

class BindFailure(GreeHvacError):
  """The local UDP socket could not be bound."""
  pass

class NotBoundError(GreeHvacError):
  """A status or command request was attempted before the device was bound."""
  pass
