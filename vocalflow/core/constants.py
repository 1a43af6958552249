"""Global constants for VocalFlow."""

# Pitch names
PITCH_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

# Tuning reference (A4)
REFERENCE_FREQ = 440.0
REFERENCE_CODE = 69
CENTS_PER_SEMITONE = 100

# Audio capture defaults
DEFAULT_SR = 44100
DEFAULT_BUFFER_SIZE = 2048

# Pitch detection
NOISE_FLOOR_RMS = 0.01
TRIM_THRESHOLD = 0.2

# Supported vocal band (Hz)
VOCAL_MIN_HZ = 80.0
VOCAL_MAX_HZ = 1200.0

# Nominal frame time (~60 fps)
DEFAULT_TICK_MS = 16.0

# Melody defaults
DEFAULT_NOTE_DURATION = 4
