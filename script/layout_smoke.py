from __future__ import annotations

import sys
from pathlib import Path


def main() -> int:
  repo_root = Path(__file__).resolve().parents[1]
  sys.path.insert(0, str(repo_root))

  from textoverlay.autofit.fontfit import LayoutRequest, calculate_optimal_font_size
  from textoverlay.autofit.metrics import estimate_text_width

  samples = [
    ("Hello World", 800, 600),
    ("Line one\n\nLine three", 640, 480),
    ("Supercalifragilisticexpialidocious " * 3, 300, 200),
    ("a" * 200, 120, 120),
  ]

  for text, w, h in samples:
    req = LayoutRequest(text=text, box_width=w, box_height=h)
    res = calculate_optimal_font_size(req)
    min_pt, max_pt = req.font_bounds()
    if not (min_pt <= res.font_size <= max(min_pt, max_pt)):
      print(f"[FAIL] size {res.font_size} outside [{min_pt}, {max_pt}] for {text!r}", file=sys.stderr)
      return 1
    widest = max((estimate_text_width(line, res.font_size, req.font_family, req.font_weight) for line in res.lines), default=0.0)
    print(f"[..] {w}x{h} size={res.font_size} lines={len(res.lines)} widest={widest:.1f}/{req.usable_width:.1f} fits={res.fits}")
    if res.fits and widest > req.usable_width:
      print(f"[FAIL] line wider than box for {text!r}", file=sys.stderr)
      return 1

  print("[OK] layout_smoke")
  return 0


if __name__ == "__main__":
  raise SystemExit(main())
