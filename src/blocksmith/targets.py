"""Per-target profiles: API surface, forbidden namespaces and fallback stubs."""

import re
from dataclasses import dataclass, field

from blocksmith.components.types import TargetProfile


@dataclass(frozen=True)
class TargetConfig:
    """Static description of one editor target."""

    name: str
    namespaces: tuple[str, ...]
    forbidden: re.Pattern
    forbidden_violation: str
    apis: str
    example: str
    stub: str
    prompt_extras: tuple[str, ...] = field(default_factory=tuple)


MICROBIT_ICON_NAMES = (
    "Heart", "SmallHeart", "Yes", "No", "Happy", "Sad", "Confused", "Angry", "Asleep", "Surprised",
    "Silly", "Fabulous", "Meh", "TShirt", "Rollerskate", "Duck", "House", "Tortoise", "Butterfly",
    "StickFigure", "Ghost", "Sword", "Giraffe", "Skull", "Umbrella", "Snake", "Rabbit", "Cow",
    "QuarterNote", "EighthNote", "Pitchfork", "Target", "Triangle", "LeftTriangle", "Chessboard",
    "Diamond", "SmallDiamond", "Square", "SmallSquare", "Scissors",
)
MICROBIT_DEPRECATED_ICON_ALIASES = ("EigthNote",)
MICROBIT_ARROW_NAMES = ("North", "NorthEast", "East", "SouthEast", "South", "SouthWest", "West", "NorthWest")
MICROBIT_GESTURE_NAMES = (
    "Shake", "LogoUp", "LogoDown", "ScreenUp", "ScreenDown", "TiltLeft", "TiltRight",
    "FreeFall", "ThreeG", "SixG", "EightG",
)
_MICROBIT_PINS = frozenset(f"P{n}" for n in (*range(17), 19, 20))

MICROBIT_ENUM_MEMBERS: dict[str, frozenset[str]] = {
    "Button": frozenset({"A", "B", "AB"}),
    "Gesture": frozenset(MICROBIT_GESTURE_NAMES),
    "TouchPin": frozenset({"P0", "P1", "P2"}),
    "Dimension": frozenset({"X", "Y", "Z", "Strength"}),
    "Rotation": frozenset({"Pitch", "Roll"}),
    "IconNames": frozenset(MICROBIT_ICON_NAMES + MICROBIT_DEPRECATED_ICON_ALIASES),
    "ArrowNames": frozenset(MICROBIT_ARROW_NAMES),
    "DigitalPin": _MICROBIT_PINS,
    "AnalogPin": _MICROBIT_PINS,
    "PulseValue": frozenset({"High", "Low"}),
    "BeatFraction": frozenset({"Whole", "Half", "Quarter", "Eighth", "Sixteenth", "Double", "Breve"}),
}

# (call, min args, max args) from the block definitions of each API
MICROBIT_CALL_SIGNATURES: tuple[tuple[str, int, int], ...] = (
    ("basic.showNumber", 1, 2),
    ("basic.showString", 1, 2),
    ("basic.showIcon", 1, 2),
    ("basic.showLeds", 1, 1),
    ("basic.showArrow", 1, 2),
    ("basic.clearScreen", 0, 0),
    ("basic.forever", 1, 1),
    ("basic.pause", 1, 1),
    ("input.onButtonPressed", 2, 2),
    ("input.onGesture", 2, 2),
    ("input.onPinPressed", 2, 2),
    ("input.buttonIsPressed", 1, 1),
    ("input.temperature", 0, 0),
    ("input.lightLevel", 0, 0),
    ("input.acceleration", 1, 1),
    ("input.compassHeading", 0, 0),
    ("input.rotation", 1, 1),
    ("input.magneticForce", 1, 1),
    ("input.runningTime", 0, 0),
    ("music.playTone", 2, 2),
    ("music.ringTone", 1, 1),
    ("music.rest", 1, 1),
    ("music.beat", 0, 1),
    ("music.tempo", 0, 0),
    ("music.setTempo", 1, 1),
    ("music.changeTempoBy", 1, 1),
    ("led.plot", 2, 2),
    ("led.unplot", 2, 2),
    ("led.toggle", 2, 2),
    ("led.point", 2, 2),
    ("led.brightness", 0, 0),
    ("led.setBrightness", 1, 1),
    ("led.plotBarGraph", 2, 3),
    ("led.enable", 1, 1),
    ("radio.sendNumber", 1, 1),
    ("radio.sendString", 1, 1),
    ("radio.sendValue", 2, 2),
    ("radio.onReceivedNumber", 1, 1),
    ("radio.onReceivedString", 1, 1),
    ("radio.setGroup", 1, 1),
    ("radio.setTransmitPower", 1, 1),
    ("radio.setTransmitSerialNumber", 1, 1),
    ("game.createSprite", 2, 2),
    ("game.addScore", 1, 1),
    ("game.score", 0, 0),
    ("game.setScore", 1, 1),
    ("game.setLife", 1, 1),
    ("game.addLife", 1, 1),
    ("game.removeLife", 1, 1),
    ("game.gameOver", 0, 0),
    ("game.startCountdown", 1, 1),
    ("pins.digitalReadPin", 1, 1),
    ("pins.digitalWritePin", 2, 2),
    ("pins.analogReadPin", 1, 1),
    ("pins.analogWritePin", 2, 2),
    ("pins.servoWritePin", 2, 2),
    ("pins.map", 5, 5),
    ("pins.onPulsed", 3, 3),
    ("pins.analogSetPitchPin", 1, 1),
    ("pins.analogPitch", 2, 2),
    ("images.createImage", 1, 1),
    ("images.createBigImage", 1, 1),
    ("images.arrowImage", 1, 1),
    ("images.iconImage", 1, 1),
    ("serial.writeLine", 1, 1),
    ("serial.writeNumber", 1, 1),
    ("serial.writeValue", 2, 2),
    ("serial.readLine", 0, 0),
    ("serial.onDataReceived", 2, 2),
    ("serial.redirect", 3, 3),
    ("control.inBackground", 1, 1),
    ("control.reset", 0, 0),
    ("control.waitMicros", 1, 1),
)

MICROBIT_FEW_SHOT_EXAMPLES = (
    "input.onButtonPressed(Button.A, function () { basic.showIcon(IconNames.Heart) })",
    "basic.forever(function () { led.toggle(2, 2); basic.pause(100) })",
    "radio.onReceivedNumber(function (receivedNumber) { basic.showNumber(receivedNumber) })",
)

_ARCADE_TOKENS = re.compile(r"sprites\.|controller\.|scene\.|game\.onUpdate", re.IGNORECASE)
_MICROBIT_TOKENS = re.compile(r"led\.|radio\.", re.IGNORECASE)

_MICROBIT_EXTRAS = (
    "MICRO:BIT BUILT-IN ICON/ENUM RULES:",
    "- If the request matches a built-in icon name (for example duck, heart, skull), prefer basic.showIcon(IconNames.<Name>).",
    "- For known icons, do NOT hand-draw LED art with basic.showLeds(`...`) unless the user explicitly asks for a custom pattern.",
    "- Valid IconNames: " + ", ".join("IconNames." + name for name in MICROBIT_ICON_NAMES),
    "- Valid ArrowNames: " + ", ".join("ArrowNames." + name for name in MICROBIT_ARROW_NAMES),
    "- Use exact event enums: Button.A, Button.B, Button.AB; " + ", ".join("Gesture." + name for name in MICROBIT_GESTURE_NAMES),
    "- Use only valid members of the built-in enums (" + ", ".join(name for name in MICROBIT_ENUM_MEMBERS if name not in ("IconNames", "ArrowNames")) + ").",
    "- Follow canonical block signatures and argument counts. Do not invent extra arguments.",
    "MICRO:BIT BLOCK-STYLE EXAMPLES (shape guidance):",
    *("- " + example for example in MICROBIT_FEW_SHOT_EXAMPLES),
)

TARGETS: dict[TargetProfile, TargetConfig] = {
    TargetProfile.MICROBIT: TargetConfig(
        name="micro:bit",
        namespaces=(
            "basic", "input", "music", "led", "radio", "pins", "loops", "logic", "variables", "math",
            "functions", "arrays", "text", "game", "images", "serial", "control",
        ),
        forbidden=_ARCADE_TOKENS,
        forbidden_violation="Arcade APIs in micro:bit/Maker",
        apis="\n".join(
            [
                "basic: showNumber(n), showString(s), showIcon(IconNames), showLeds(`...`), showArrow(ArrowNames), clearScreen(), forever(handler), pause(ms)",
                "input: onButtonPressed(Button.A/B/AB, handler), onGesture(Gesture.Shake/Tilt/..., handler), onPinPressed(TouchPin.P0/P1/P2, handler), buttonIsPressed(Button), temperature(), lightLevel(), acceleration(Dimension.X/Y/Z), compassHeading(), rotation(Rotation), magneticForce(Dimension), runningTime()",
                "music: playTone(Note, BeatFraction), ringTone(freq), rest(BeatFraction), beat(BeatFraction), tempo(), setTempo(bpm), changeTempoBy(delta)",
                "led: plot(x,y), unplot(x,y), toggle(x,y), point(x,y), brightness(), setBrightness(n), plotBarGraph(value, high), enable(on)",
                "radio: sendNumber(n), sendString(s), sendValue(name, n), onReceivedNumber(handler), onReceivedString(handler), setGroup(id), setTransmitPower(n), setTransmitSerialNumber(on)",
                "game: createSprite(x,y), .move(n), .turn(Direction,degrees), .ifOnEdgeBounce(), .isTouching(other), .isTouchingEdge(), addScore(n), score(), setScore(n), setLife(n), addLife(n), removeLife(n), gameOver(), startCountdown(ms)",
                "pins: digitalReadPin(DigitalPin), digitalWritePin(DigitalPin,value), analogReadPin(AnalogPin), analogWritePin(AnalogPin,value), servoWritePin(AnalogPin,value), map(value,fromLow,fromHigh,toLow,toHigh), onPulsed(DigitalPin,PulseValue,handler), analogSetPitchPin(AnalogPin), analogPitch(freq,ms)",
                "images: createImage(`...`), createBigImage(`...`), arrowImage(ArrowNames), iconImage(IconNames)",
                "serial: writeLine(s), writeNumber(n), writeValue(name,value), readLine(), onDataReceived(delimiter,handler), redirect(tx,rx,rate)",
                "control: inBackground(handler), reset(), waitMicros(us)",
                "loops, logic, variables, math, functions, arrays, text (standard language built-ins)",
            ]
        ),
        example="\n".join(
            [
                "input.onButtonPressed(Button.A, function () {",
                '    basic.showString("Hello")',
                "})",
                "let count = 0",
                "basic.forever(function () {",
                "    count += 1",
                "    basic.showNumber(count)",
                "    basic.pause(1000)",
                "})",
            ]
        ),
        stub="\n".join(["basic.onStart(function () {", '    basic.showString("Hi")', "})"]),
        prompt_extras=_MICROBIT_EXTRAS,
    ),
    TargetProfile.ARCADE: TargetConfig(
        name="Arcade",
        namespaces=("controller", "game", "scene", "sprites", "info", "music", "effects"),
        forbidden=_MICROBIT_TOKENS,
        forbidden_violation="micro:bit APIs in Arcade",
        apis="\n".join(
            [
                "sprites: create(img, SpriteKind), createProjectileFromSprite(img, sprite, vx, vy), onCreated(SpriteKind, handler), onDestroyed(SpriteKind, handler), onOverlap(SpriteKind, SpriteKind, handler), allOfKind(SpriteKind)",
                "controller: moveSprite(sprite, vx, vy), controller.A.onEvent(ControllerButtonEvent, handler), controller.B.onEvent(ControllerButtonEvent, handler), dx(), dy()",
                "scene: setBackgroundColor(color), setBackgroundImage(img), cameraFollowSprite(sprite), setTileMapLevel(tilemap), onHitWall(SpriteKind, handler), onOverlapTile(SpriteKind, tile, handler)",
                "game: onUpdate(handler), onUpdateInterval(ms, handler), splash(title, subtitle?), over(win), reset()",
                "info: score(), setScore(n), changeScoreBy(n), life(), setLife(n), changeLifeBy(n), startCountdown(s), onCountdownEnd(handler), onLifeZero(handler)",
                "music: playTone(freq, ms), playMelody(melody, tempo), setVolume(vol)",
                "effects: spray, fire, warm radial, cool radial, halo, fountain (applied via sprite.startEffect())",
                "animation: runImageAnimation(sprite, frames, interval, loop), runMovementAnimation(sprite, path, interval, loop)",
            ]
        ),
        example="\n".join(
            [
                "let mySprite = sprites.create(img`",
                "    . . . . . . . .",
                "    . . . 7 7 . . .",
                "    . . 7 7 7 7 . .",
                "    . . . 7 7 . . .",
                "`, SpriteKind.Player)",
                "controller.moveSprite(mySprite)",
                "mySprite.setStayInScreen(true)",
            ]
        ),
        stub="\n".join(
            [
                "controller.A.onEvent(ControllerButtonEvent.Pressed, function () {",
                '    game.splash("Start!")',
                "})",
                "game.onUpdate(function () {",
                "})",
            ]
        ),
    ),
    TargetProfile.MAKER: TargetConfig(
        name="Maker",
        namespaces=("pins", "input", "loops", "music"),
        forbidden=_ARCADE_TOKENS,
        forbidden_violation="Arcade APIs in micro:bit/Maker",
        apis="\n".join(
            [
                "pins: digitalReadPin(DigitalPin), digitalWritePin(DigitalPin, value), analogReadPin(AnalogPin), analogWritePin(AnalogPin, value), servoWritePin(AnalogPin, value), map(value, fromLow, fromHigh, toLow, toHigh)",
                "input: onButtonPressed(handler), buttonIsPressed(), temperature(), lightLevel()",
                "loops: forever(handler), pause(ms)",
                "music: playTone(freq, ms), ringTone(freq), rest(ms), setTempo(bpm)",
            ]
        ),
        example="\n".join(
            [
                "let on = false",
                "loops.forever(function () {",
                "    on = !(on)",
                "    if (on) {",
                "        pins.digitalWritePin(DigitalPin.P0, 1)",
                "    } else {",
                "        pins.digitalWritePin(DigitalPin.P0, 0)",
                "    }",
                "    loops.pause(500)",
                "})",
            ]
        ),
        stub="\n".join(["loops.forever(function () {", "})"]),
    ),
}


def get_target(target) -> TargetConfig:
    """Return the profile for ``target``, falling back to micro:bit."""
    return TARGETS[TargetProfile.resolve(target)]


def stub_for_target(target) -> str:
    """Fixed program known to decompile to blocks on ``target``."""
    return get_target(target).stub
