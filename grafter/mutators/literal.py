"""
Fixed string-literal swaps.

Each rewrite here recognizes the source text of one known crashing snippet
(typically code passed to `evalInWorker` or `eval`) and replaces it with a
known non-crashing variant, keeping the literal's output variable so every
reader of the string is unaffected.
"""

from __future__ import annotations

from grafter.equivalence import LiteralEquivalenceRewrite

CLONEBUFFER_WORKER_SOURCE = (
    "\n"
    "  let z = [[3,,,,,,241,255,,,,,55,,255,255,,,,,,,,,]];\n"
    "  for (let x of z) {\n"
    "    let y = serialize();\n"
    "    y.clonebuffer = new Int8Array(x).buffer;\n"
    "    deserialize(y);\n"
    "  }\n"
)

PLAIN_OBJECT_WORKER_SOURCE = (
    "\n"
    "  let simpleObject = { data: \"some data\", value: 42 };\n"
    "\n"
    "  try {\n"
    "      let serializedData = serialize(simpleObject);\n"
    "      let deserializedData = deserialize(serializedData);\n"
    "      if (deserializedData.value !== 42) {\n"
    "      }\n"
    "  } catch(e) {\n"
    "      let y = serialize();\n"
    "      y.payload = simpleObject;\n"
    "      let deserializedY = deserialize(y);\n"
    "       if (!deserializedY.payload || deserializedY.payload.value !== 42) {\n"
    "       }\n"
    "  }\n"
    "\n"
    "  let calculation = 5 * 8;\n"
)

IIFE_LOOP_SOURCE = """
      for (let x = 0, y = 9; y; ) {
        (function() {
          y--;
          let z = {};
          z.sameZoneAs = [];
          newGlobal(z).Debugger(this).getNewestFrame().environment;
        })()}
"""

GENERATOR_LOOP_SOURCE = """
      function* genFunc(yRef) {
          yRef.y--;
          let z = {};
          z.sameZoneAs = [];
          newGlobal(z).Debugger(this).getNewestFrame().environment;
          yield;
      }
      let obj = { y: 9 };
      for (let x = 0; obj.y; ) {
          let iter = genFunc(obj);
          iter.next();
      }
"""


class EvalInWorkerRewrite(LiteralEquivalenceRewrite):
    """Serialize a plain object in the worker instead of a sparse-array clonebuffer."""

    TARGET = CLONEBUFFER_WORKER_SOURCE
    REPLACEMENT = PLAIN_OBJECT_WORKER_SOURCE


class OomEvalIifeRewrite(LiteralEquivalenceRewrite):
    """Turn the IIFE inside an eval'd loop into a generator driven by the loop."""

    TARGET = IIFE_LOOP_SOURCE
    REPLACEMENT = GENERATOR_LOOP_SOURCE
