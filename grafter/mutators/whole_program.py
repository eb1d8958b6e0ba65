"""
Whole-program swaps, driven through an external lifter and parser.
"""

from __future__ import annotations

from grafter.equivalence import ProgramEquivalenceRewrite

STENCIL_LAZINESS_SOURCE = """
function assertThrowsInstanceOf(f, constructor, message) {
  try {
    f();
  } catch (e) {
    if (e instanceof constructor)
      return;
    print("Assertion failed: expected exception " + constructor.name + ", got " + e);
    if (message)
      print(message);
    throw e;
  }
  print("Assertion failed: expected exception " + constructor.name + ", no exception thrown");
  if (message)
    print(message);
  throw new Error("Assertion failed: expected exception " + constructor.name + ", no exception thrown");
}
assertThrowsInstanceOf(() => { eval("throw new Error") }, Error);
"""

RELIABLE_THROW_SOURCE = """
function assertThrowsInstanceOf(f, constructor, message) {
  try {
    f();
  } catch (e) {
    if (e instanceof constructor)
      return;
    throw new Error("Caught wrong error type: " + e);
  }
  throw new Error("Assertion failed: expected exception " + constructor.name + ", no exception thrown");
}
// Accessing a property of null always throws a TypeError.
assertThrowsInstanceOf(() => {
  const obj = null;
  obj.property;
}, TypeError);
assertThrowsInstanceOf(() => {
    throw new RangeError("Index out of bounds");
}, RangeError);
"""


class StencilLazinessRewrite(ProgramEquivalenceRewrite):
    """
    Replace the stencil-laziness assertion test, whose eval'd throw is not
    reliably observed, with one that throws through a null property access.
    """

    TARGET = STENCIL_LAZINESS_SOURCE
    REPLACEMENT = RELIABLE_THROW_SOURCE
