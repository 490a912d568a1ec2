from bytecode_cfg.errors import FrozenGraphError


class BasicBlock:
    def __init__(self, block_id, start_index, end_index):
        self.id = block_id
        self.start_index = start_index
        self.end_index = end_index  # Exclusive
        self.outgoing = []  # Edge ids, in creation order
        self.incoming = []  # Edge ids, back references only
        self.terminal = False  # Ends in return/throw
        self._frozen = False

    def freeze(self):
        self.outgoing = tuple(self.outgoing)
        self.incoming = tuple(self.incoming)
        self._frozen = True

    def __setattr__(self, name, value):
        if getattr(self, "_frozen", False):
            raise FrozenGraphError(f"Block {self.id} belongs to a frozen graph")
        super().__setattr__(name, value)

    def __len__(self):
        return self.end_index - self.start_index

    def __contains__(self, index):
        return self.start_index <= index < self.end_index

    @property
    def last_index(self):
        return self.end_index - 1

    def __repr__(self):
        return f"BasicBlock(id={self.id}, range=[{self.start_index}, {self.end_index}))"
