"""
EtherDAW - a score compiler for declarative music documents.

A score names its patterns, builds sections out of tracks that play those
patterns, and lists the sections in arrangement order. EtherDAW compiles
it into a timeline: every note with its start and duration in beats and
in seconds, plus the tempo and key changes between sections. Rendering
audio or writing MIDI is left to whatever consumes the timeline.

What it handles:

- **Micro-notation.** ``"C4:q"``, ``"Eb5:8.*@f?0.7"``, ``"r:h"`` for notes
  and rests; ``"Am7:h"``, ``"Cmaj9@drop2/E:w"`` for chords.
- **Pattern kinds.** Note and chord lists, scale degrees, arpeggios, drum
  step strings, Euclidean rhythms, Markov-chain melodies, transformation
  chains (invert, retrograde, augment, stretch, velocity curves),
  voice-led progressions, motivic continuations, tuplets, conditional and
  inherited patterns.
- **Scheduling.** Multi-pattern tracks and repeats laid out by each
  pattern's real length, tracks filled to their section's length, swing,
  humanize and groove templates.
- **Absolute time.** Tempo changes mid-piece re-base every later event.
- **Diagnostics, not crashes.** Missing references and bad tokens are
  collected and returned with a best-effort timeline.
- **Reproducible.** All randomness comes from one seedable generator.

Minimal example:

    ```python
    import etherdaw

    score = etherdaw.create_simple_score({"lead": "C4:q E4:q G4:q C5:q"}, bars=2)
    result = etherdaw.compile(score, etherdaw.CompileOptions(seed=42))

    for note in result.timeline.notes():
        print(note.pitch, note.time_seconds, note.duration_seconds)
    ```

Package-level exports: ``compile``, ``CompileOptions``, ``Score``,
``load``, ``create_simple_score``, ``validate_score``, ``analyze``.
"""

import etherdaw.compiler
import etherdaw.score


compile = etherdaw.compiler.compile
CompileOptions = etherdaw.compiler.CompileOptions
Score = etherdaw.score.Score
load = etherdaw.score.load
create_simple_score = etherdaw.compiler.create_simple_score
validate_score = etherdaw.compiler.validate_score
analyze = etherdaw.compiler.analyze
