"""
Mapping View State
Ephemeral editor state projected from a MappingModel.

Selection, slot focus and per-key "has sample" flags live here, never in
the model, and are never written to a preset. The projection subscribes to
the model's listener hook and re-emits Qt signals for the keyboard/grid
widgets.
"""

from typing import Dict, List, Optional, Tuple

from PyQt5.QtCore import QObject, pyqtSignal

from .mapping import MappingModel, VelocityLayer


class MappingViewState(QObject):
    """
    Selection and presentation state for one MappingModel.

    Emits signals when selection or key contents change so widgets can react.
    """

    key_selected = pyqtSignal(int)                 # key_id (-1 = none)
    slot_selected = pyqtSignal(int, int)           # layer_id, round-robin index (-1, -1 = none)
    layers_changed = pyqtSignal(int)               # key_id whose layers changed
    sample_status_changed = pyqtSignal(int, bool)  # key_id, has_sample

    def __init__(self, model: MappingModel, parent=None):
        super().__init__(parent)
        self._model = model
        self._selected_key: Optional[int] = None
        self._selected_slot: Optional[Tuple[int, int]] = None
        self._has_sample: Dict[int, bool] = {k.midi_note: k.has_sample for k in model.keys}
        model.add_listener(self._on_model_changed)

    def detach(self):
        """Stop observing the model."""
        self._model.remove_listener(self._on_model_changed)

    @property
    def selected_key(self) -> Optional[int]:
        return self._selected_key

    @property
    def selected_slot(self) -> Optional[Tuple[int, int]]:
        return self._selected_slot

    def select_key(self, key_id: Optional[int]):
        if key_id is not None:
            self._model.key(key_id)
        if key_id == self._selected_key:
            return
        self._selected_key = key_id
        self.clear_slot_selection()
        self.key_selected.emit(-1 if key_id is None else key_id)

    def select_slot(self, layer_id: int, index: int):
        layer = self._model.layer(layer_id)
        if layer.key_id != self._selected_key:
            self.select_key(layer.key_id)
        self._selected_slot = (layer_id, index)
        self.slot_selected.emit(layer_id, index)

    def clear_slot_selection(self):
        if self._selected_slot is not None:
            self._selected_slot = None
            self.slot_selected.emit(-1, -1)

    def visible_layers(self) -> List[VelocityLayer]:
        """Layers of the selected key, loudest first."""
        if self._selected_key is None:
            return []
        return self._model.layers_for_key(self._selected_key)

    def key_has_sample(self, key_id: int) -> bool:
        return self._has_sample.get(key_id, False)

    def _on_model_changed(self, event: str, key_id: int):
        has_sample = self._model.has_sample(key_id)
        if self._has_sample.get(key_id) != has_sample:
            self._has_sample[key_id] = has_sample
            self.sample_status_changed.emit(key_id, has_sample)

        if self._selected_slot is not None:
            layer_id, _ = self._selected_slot
            try:
                self._model.layer(layer_id)
            except KeyError:
                self.clear_slot_selection()

        self.layers_changed.emit(key_id)
